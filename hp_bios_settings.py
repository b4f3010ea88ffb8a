#!/usr/bin/env python3
"""
Standalone HP BIOS configuration script - can be run directly with python3

Usage:
    python3 hp_bios_settings.py --get-settings
    python3 hp_bios_settings.py --set-settings --csv-path baseline.csv -v
"""
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

# Import and run the CLI
from hp_bios_config.cli import main

if __name__ == '__main__':
    sys.exit(main())
