#!/usr/bin/python

if "parabootstrap-dist" in __file__:
    # Dist environment.
    import os
    import sys
    sys.path.append(sys.path.pop(0))
    sys.path.insert(0, os.getcwd())

    import parabootstrap
    parabootstrap.set_prefix_path(os.getcwd())
else:
    # Dev environment.
    from os.path import join, realpath
    import sys
    sys.path.insert(0, realpath(join(__file__, "../../")))
