[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "urlshortener"
version = "1.0.0"
description = "A URL shortening HTTP service with file and SQL storage"
requires-python = ">=3.10"
keywords = ["url", "shortener", "http", "flask", "base62", "jwt"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "flask",
    "pyjwt",
    "sqlalchemy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
urlshortener = "urlshortener.app:main"

[tool.hatch.build.targets.wheel]
packages = ["urlshortener"]

[tool.pytest.ini_options]
addopts = "-ra"
