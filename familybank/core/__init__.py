"""Core module for the familybank application."""
