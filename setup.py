from setuptools import setup, find_packages

setup(
    name="playsession",
    version="1.0.0",
    packages=find_packages(include=["playsession", "playsession.*"]),
    install_requires=[
        "playwright>=1.40.0",
        "rich",
        "dataclasses-json>=0.6.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0",
        "aiofiles>=23.2.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "playsession-cli=playsession.__main__:main",
        ],
    },
    python_requires=">=3.9",
    description="Lifecycle management for Playwright-driven browser sessions",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
