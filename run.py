#!/usr/bin/env python3
"""
Fugato Launcher
Run this script to use the Fugato command line without installing it.
"""

if __name__ == "__main__":
    from fugato.main import main
    main()
