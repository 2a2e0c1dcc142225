# conftest.py — root-level pytest configuration
import sys
import os

# Ensure the project root is on sys.path so that
# ``import core`` / ``import services`` work without editable install.
sys.path.insert(0, os.path.dirname(__file__))
