#!/usr/bin/env python

import sys

import path_util  # noqa: F401

from parabootstrap.client.phase_runner import BOOTSTRAP_POOLS, main

if __name__ == "__main__":
    sys.exit(main(BOOTSTRAP_POOLS))
