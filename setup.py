from setuptools import find_packages
from setuptools import setup


with open("README.md", "r") as f:
    long_description = f.read()

with open("test_deps.txt") as f:
    testing_deps = [line.strip() for line in f.readlines() if line.strip()]

setup(
    name="catalysishub-mcp",
    version="0.1.0",
    description="MCP server exposing the Catalysis Hub GraphQL API as a tool",
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="BSD 3",
    packages=find_packages(exclude=["tests*", "scripts"]),
    package_data={"catalysishub_mcp": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=[
        "aiohttp",
        "docstring_parser",
        "requests",
        "yarl",
    ],
    tests_require=testing_deps,
    entry_points={
        "console_scripts": [
            "catalysishub-mcp=catalysishub_mcp.server:main",
            "catalysishub-mcp-query=catalysishub_mcp.cmd:main_query",
        ]
    },
    extras_require={
        "testing": testing_deps,
    },
    # Required for mypy compatibility, see
    # https://mypy.readthedocs.io/en/stable/installed_packages.html#making-pep-561-compatible-packages
    zip_safe=False,
)
