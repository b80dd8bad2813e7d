#!/usr/bin/env python

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="guardeddb",
    version="1.0.0",
    description="A guarded data-access layer: whitelisted identifiers, sanitized clauses and bound parameters",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    license="GPLv2",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python",
        "Natural Language :: English",
        "License :: OSI Approved :: GNU General Public License v2 (GPLv2)",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Database",
        "Topic :: Security"
    ],
    install_requires=[
        "mysql-connector-python>=8.0.0",
        "bcrypt>=4.0.0",
    ],
    extras_require={
        "mysql": ["mysql-connector-python>=8.0.0"],
        "test": ["pytest>=7.0.0"],
    },
    python_requires=">=3.8",
)
