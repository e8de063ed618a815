"""
Integration tests for the taskflow client.

Tests run the client against the in-memory Flask fake of the remote API,
either over a live werkzeug server or through Flask's test client.
"""
