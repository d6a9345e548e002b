# -*- coding: utf-8 -*-

from setuptools import find_packages, setup

extras_require = {
    "test": [
        "pytest>=7.0,<9.0",
        "pytest-cov>=4.0,<6.0",
        "pytest-instafail>=0.4,<1.0",
        "pytest-xdist>=3.0,<4.0",
        "hypothesis>=6.0,<7.0",
    ],
    "lint": [
        "black==23.12.0",
        "flake8==6.1.0",
        "flake8-bugbear==23.12.2",
        "flake8-use-fstring==1.4",
        "isort==5.13.2",
        "mypy==1.5",
    ],
    "dev": ["ipython", "pre-commit", "twine"],
}

extras_require["dev"] = extras_require["test"] + extras_require["lint"] + extras_require["dev"]

with open("README.md", "r") as f:
    long_description = f.read()


setup(
    name="intrange",
    version="0.1.0",
    description="Whole-program integer range propagation with wraparound intervals",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="intrange developers",
    author_email="",
    license="Apache License 2.0",
    keywords="static analysis integer range interval abstract interpretation",
    include_package_data=True,
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11,<4",
    install_requires=["lark>=1.1.9,<2", "cbor2>=5.4.6,<6"],
    tests_require=extras_require["test"],
    extras_require=extras_require,
    entry_points={"console_scripts": ["intrange=intrange.cli.intrange_main:_parse_cli_args"]},
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
