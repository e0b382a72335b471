#!/usr/bin/env python3
"""
Logging and parsing helpers
"""
