"""
zerohatch test suite
====================

No test runs a real package manager, linter, git or gh: every component
that shells out receives the ``FakeRunner`` from ``conftest.py``.

Test Modules
------------
- test_models.py: Pydantic configuration models
- test_validator.py: Name rules and configuration validation
- test_engine.py / test_codegen.py: Template preparation and writing
- test_toolchains.py / test_quality.py: Tool output parsing and the quality gate
- test_hooks.py / test_vcs.py: Commit hooks, git and GitHub setup
- test_verifier.py: Post-generation verification
- test_orchestrator.py: The whole pipeline
- test_dashboard.py: The quality dashboard store
- test_cli.py / test_intent.py: Command line and free-text requests

Running Tests
-------------
    # Run all tests
    pytest

    # Skip whole-pipeline tests
    pytest -m "not integration"

    # Run specific test class
    pytest tests/test_orchestrator.py::TestFailures
"""
