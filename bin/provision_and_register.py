#!/usr/bin/env python

import sys

import path_util  # noqa: F401

from parabootstrap.client.phase_runner import PROVISION_AND_REGISTER, main

if __name__ == "__main__":
    sys.exit(main(PROVISION_AND_REGISTER))
