from setuptools import setup, find_packages

setup(
    name="agentguard",
    version="0.1.0",
    description="Health, security and reputation assessment for registered AI agent identities",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "httpx>=0.27",
        "pydantic>=2.0",
        "python-json-logger>=3.1",
    ],
    extras_require={"dev": ["pytest>=7.0", "pytest-asyncio>=0.23", "respx>=0.21"]},
    entry_points={"console_scripts": ["agentguard=agentguard.cli:main"]},
    python_requires=">=3.9",
    license="CC0-1.0",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Security",
        "Topic :: Software Development :: Libraries",
        "License :: CC0 1.0 Universal (CC0 1.0) Public Domain Dedication",
        "Programming Language :: Python :: 3",
    ],
    keywords="agent identity erc-8004 security audit reputation",
)
