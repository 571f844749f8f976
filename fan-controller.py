#!/usr/bin/env python3
"""
SuperMicro Fan Controller
Dynamically controls server fan banks based on temperature readings via IPMI

Usage: fan-controller.py [config.yaml]
"""

import sys

from chassis_fan_controller.cli import main

if __name__ == "__main__":
    sys.exit(main())
