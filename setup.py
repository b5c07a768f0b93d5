"""
Setup configuration for the Registration Score Evaluation harness.
"""

from setuptools import setup, find_packages

setup(
    name="registration-score-eval",
    version="0.1.0",
    description="Score-grid evaluation and trajectory comparison of pairwise registration estimators",
    author="Registration Eval Team",
    packages=find_packages(include=["regeval", "regeval.*", "tools"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "typer>=0.9.0",
        "rich>=13.0.0",
        "tqdm>=4.65.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.3.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.3.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "regeval=tools.cli:main",
        ],
    },
)
