#!/usr/bin/env python
"""
Run script for numcalc.
Starts the CLI (or the web API with ``python run.py serve``) without installing.
"""

from numcalc.app import main

if __name__ == "__main__":
    main()
