"""Fidelya loyalty network API."""
