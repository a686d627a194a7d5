"""Setup configuration for home-gallery package."""

from setuptools import find_packages, setup

# Read version from __version__.py
version = {}
with open("src/python/home_gallery/__version__.py") as f:
    exec(f.read(), version)

# Read README
with open("README.md", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="home-gallery",
    version=version["__version__"],
    description="Home photo slideshow, on-this-day memories and media indexing service",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Home Gallery Team",
    python_requires=">=3.11",
    package_dir={"": "src/python"},
    packages=find_packages(where="src/python", include=["home_gallery", "home_gallery.*"]),
    install_requires=[
        "pyyaml>=6.0.1",
        "pillow>=10.2.0",
        "exifread>=3.0.0",
        "sqlalchemy>=2.0.25",
        "flask>=3.0.0",
        "apscheduler>=3.10.4,<4",
        "click>=8.1.7",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "pytest-cov>=4.1.0",
            "pytest-mock>=3.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "home-gallery=home_gallery.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
)
