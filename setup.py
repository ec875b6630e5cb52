"""
Setup script for the commitment-challenge package.

The engine itself needs pydantic and python-dotenv; the Anthropic client
backs AnthropicVerifier.
"""

from setuptools import setup, find_packages

setup(
    name="commitment-challenge",
    version="1.0.0",
    description="Commitment challenge game engine - stakes, checkpoints, verification and settlement",
    author="Commitment Challenge Team",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.0",
        "anthropic>=0.18.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "build",
            "wheel",
        ],
    },
    entry_points={
        "console_scripts": [
            "commitment-challenge=commitment_challenge.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
