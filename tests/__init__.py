"""
Announcer Test Suite
"""
