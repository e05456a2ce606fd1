"""Revision management core of the OpenStore app store API."""

__version__ = "0.1.0"
