"""
Test suite for the taskflow client.

This package contains:
- unit/: Engine tests with the HTTP boundary monkeypatched
- integration/: The client against a live fake of the remote API
- contracts/: Consumer checks against the OpenAPI contract
- fakes/: HTTP doubles and the fake remote API
"""
