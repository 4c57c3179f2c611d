from setuptools import setup, find_packages

setup(
    name="line-build-engine",
    version="0.1.0",
    description="Kitchen line build derivation, validation and complexity scoring",
    author="Line Build",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.25.0",
        "pydantic>=2.6.0",
        "python-dateutil>=2.8.2",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
