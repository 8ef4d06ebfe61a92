from setuptools import setup, find_packages

setup(
    name="exp-run",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21.0",
        "pandas>=1.5.0",
        "Jinja2>=3.0.0",
        "requests>=2.28.0",
        "Flask>=2.2.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "exp-run=src.exp_run.cli:main",
        ],
    },
)
