#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setuptools.setup(
    name="yz-accesslog",
    version="1.0.0",
    author="zhouwe1",
    author_email="zhouwei@live.it",
    description="Common Log Format access log with reverse-proxy annotations for FastAPI/Starlette",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/zhouwe1/yz-core.git",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.9',
    install_requires=[
        "fastapi>=0.100",
        "starlette>=0.27",
        "uvicorn>0.13",
        "pydantic>=2.0",
        "pydantic-settings>=2.7",
    ],
    extras_require={
        'test': ['pytest>=7.0', 'httpx>=0.24'],
    }
)
