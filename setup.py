"""
Compatibility shim: all package configuration lives in pyproject.toml.
"""

from setuptools import setup

setup()
