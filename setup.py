#!/usr/bin/env python3
"""
Setup script for hackbot
"""

from setuptools import setup, find_packages

setup(
    name="hackbot",
    version="0.1.0",
    description="Single-session hack.chat channel bot with roster tracking and in-band commands",
    packages=find_packages(include=["hackbot", "hackbot.*", "shared", "shared.*"]),
    install_requires=[
        "websockets>=15.0",
        "click>=8.1.7",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "aioconsole>=0.8.1",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'hackbot=hackbot.cli:main',
        ],
    },
)
