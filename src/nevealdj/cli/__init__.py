#!/usr/bin/env python3
"""
Command line and host server
"""
