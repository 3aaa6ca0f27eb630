"""Homeport - wire a home-server web app to the public internet."""

__version__ = "0.1.0"
