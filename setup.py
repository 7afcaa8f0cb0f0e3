# setup.py
from setuptools import setup, find_packages

setup(
    name="mongo-batch",
    version="0.1.0",
    description="Split MongoDB collections for parallel scans and write results back idempotently",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "pymongo>=4.0",
        "tqdm",
        "setproctitle",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
