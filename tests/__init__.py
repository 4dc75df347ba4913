"""
Test suite for the Project Tracker service.
"""
