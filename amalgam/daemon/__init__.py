"""Amalgam daemon: search coordination, clipboard history and collaborators."""
