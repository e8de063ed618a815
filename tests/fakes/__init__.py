"""Test doubles for the remote taskflow API."""
