# setup.py
from setuptools import setup, find_packages

setup(
    name="ledgerly",
    version="0.1.0",
    description="A personal bookkeeping CLI for categorized transactions, monthly budgets and reports",
    author="Your Name",
    author_email="you@example.com",
    url="https://github.com/yourusername/ledgerly",
    packages=find_packages(include=["finance_ledger", "finance_ledger.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "pandas>=1.1",
        "python-dotenv>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ledgerly=finance_ledger.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
