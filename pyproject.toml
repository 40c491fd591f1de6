[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "contentkit"
version = "1.0.0"
description = "Content management building blocks: articles, pages, menus and media on SQLite"
requires-python = ">=3.10"
dependencies = []
keywords = ["cms", "content", "articles", "pages", "menus", "media", "sqlite"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content :: Content Management System",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["contentkit"]

[tool.pytest.ini_options]
addopts = "-ra"
