from setuptools import setup

setup(
    name='ircbus',
    version='0.1.0',
    packages=[
        'ircbus'
    ],
    install_requires=['tornado'],
    extras_require={
        'tests': 'pytest',             # collect and run tests
        'coverage': 'pytest-cov'       # get test case coverage
    },
    python_requires='>=3.6',

    keywords='irc library python3 threaded event bus',
    description='A threaded IRC protocol engine: message parsing, connection I/O, an event bus and channel state.',
    license='BSD',

    zip_safe=True,
    test_suite='tests'
)
