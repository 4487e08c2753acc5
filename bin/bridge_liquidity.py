#!/usr/bin/env python

import sys

import path_util  # noqa: F401

from parabootstrap.client.phase_runner import BRIDGE_LIQUIDITY, main

if __name__ == "__main__":
    sys.exit(main(BRIDGE_LIQUIDITY))
