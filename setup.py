import os

from setuptools import setup

VERSION = "0.1"


def get_long_description():
    with open(
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "README.md"),
        encoding="utf8",
    ) as fp:
        return fp.read()


setup(
    name="notionsite",
    description="Cached Notion database client and block-to-HTML renderer",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="Apache License, Version 2.0",
    version=VERSION,
    packages=[
        "notionsite",
        "notionsite.lib",
    ],
    entry_points="""
        [console_scripts]
        notionsite=notionsite.cli:cli
    """,
    install_requires=[
        "aiohttp",
        "click",
        "pydantic>=2",
        "pydantic-core",
    ],
    extras_require={
        "test": [
            "coverage",
            "pytest",
            "pytest-aiohttp",
            "pytest-asyncio",
            "black",
            "isort",
            "flake8",
            "mypy",
        ],
    },
    python_requires=">=3.10",
)
