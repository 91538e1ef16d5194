"""
Report Engine Supervisor
Per-language process supervision and JSON-over-HTTP queries for report engines
"""

from setuptools import find_packages, setup

setup(
    name="report-engine-supervisor",
    version="0.1.0",
    description="Process supervisor and query client for local report engines",
    author="SAGE Project",
    license="Apache License 2.0",
    packages=find_packages(include=["report_supervisor", "report_supervisor.*"]),
    python_requires=">=3.10",
    install_requires=[
        "aiohttp>=3.8.0,<3.14",
        "psutil>=5.9.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "aioresponses>=0.7.4",
            "ruff>=0.1.0",
        ],
    },
)
