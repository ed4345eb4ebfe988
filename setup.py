#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="redmutex",
    version="0.1.0",
    author="Deven.Wen",
    author_email="kangqiang.w@gmail.com",
    description="基于Redis的分布式互斥锁，提供跨进程的临界区保护",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/DevenWen/redmutex",
    packages=find_packages(include=["redmutex", "redmutex.*"]),
    py_modules=["mutexctl"],
    install_requires=requirements,
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["mutexctl=mutexctl:main"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10"
)
