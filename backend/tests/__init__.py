"""
puzzlebox test suite

Test structure:
- unit/: Models, engine components, config and the HTTP API in isolation
- integration/: Validator and runtime together over complete experiences
- conftest.py: Shared experience documents and fixtures
"""
