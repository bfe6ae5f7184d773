from setuptools import find_packages, setup

setup(
    name="toylang",
    version="0.1.0",
    description="A micro language server for a toy language",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "toylang=toylang.cli:main",
            "toylang-lsp=toylang.lsp.server:main",
        ],
    },
)
