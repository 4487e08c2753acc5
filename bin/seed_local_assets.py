#!/usr/bin/env python

import sys

import path_util  # noqa: F401

from parabootstrap.client.phase_runner import SEED_LOCAL_ASSETS, main

if __name__ == "__main__":
    sys.exit(main(SEED_LOCAL_ASSETS))
