import os
import pytest

# Marker -> (description, reason to skip when its --skip-<marker> option is given).
SKIPPABLE_MARKERS = {
    'meta': ('tests of the test suite itself', 'test suite-testing'),
    'slow': ('tests that take a while', 'slow'),
    'real': ('tests against a real IRC server', 'real life'),
}
REAL_SERVER_VARIABLES = ('IRCBUS_TESTS_REAL_HOST', 'IRCBUS_TESTS_REAL_PORT')


def pytest_addoption(parser):
    for marker, (_, kind) in SKIPPABLE_MARKERS.items():
        parser.addoption('--skip-' + marker, action='store_true', help='skip {} tests'.format(kind))


def pytest_configure(config):
    for marker, (description, _) in SKIPPABLE_MARKERS.items():
        config.addinivalue_line('markers', '{}: {}'.format(marker, description))


def pytest_runtest_setup(item):
    for marker, (_, kind) in SKIPPABLE_MARKERS.items():
        if marker in item.keywords and item.config.getoption('--skip-' + marker):
            pytest.skip('skipping {} test (--skip-{} given)'.format(kind, marker))

    missing = [name for name in REAL_SERVER_VARIABLES if not os.getenv(name)]
    if 'real' in item.keywords and missing:
        pytest.skip('skipping real life test ({} not set)'.format(', '.join(missing)))
