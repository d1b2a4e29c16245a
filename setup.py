from setuptools import setup, find_packages

setup(
    name="solx",
    version="0.1.0",
    description="SOL-X — declarative Solana programs compiled to Anchor",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "solx=solx.cli:main",
        ],
    },
)
