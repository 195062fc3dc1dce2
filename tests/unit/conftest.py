"""
Unit Test Layer Configuration

Structure:
    tests/unit/
    ├── core/          Store filters, configuration
    ├── invitation/    State machine, tracking codes
    ├── deliverable/   Review folds, request models
    └── realtime/      Change feed mapping, channel authorization

Usage:
    pytest tests/unit -v
    pytest tests/unit/invitation -v
"""


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
