"""Contract tests against contracts/remote_api_openapi.yaml."""
