from setuptools import setup, find_packages

setup(
    name="benchsink",
    version="0.1.0",
    description="Rotating diagnostic sink for benchmark latency telemetry with S3 upload",
    author="Dariusz Duszyński",
    author_email="dariusz@datavision.pl",

    package_dir={"": "src"},
    packages=find_packages(where="src"),

    install_requires=[
        "boto3>=1.26.0",
        "pydantic>=2.0.0",
        "click>=8.1.0",
        "pyyaml>=6.0",
        "prometheus-client>=0.16.0",
        "structlog>=23.1.0",
    ],

    extras_require={
        "dev": [
            "pytest>=7.3.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "moto[s3]>=5.0.0",
            "black>=23.3.0",
            "mypy>=1.3.0",
            "ruff>=0.0.270",
        ],
    },

    entry_points={
        "console_scripts": [
            "benchsink=benchsink.cli.main:cli",
        ],
    },

    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
    ],
)
