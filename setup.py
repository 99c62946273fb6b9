from setuptools import setup, find_packages

setup(
    name="term_structure_engine",
    version="0.1.0",
    description="Yield curve bootstrapping and observable derived term structures",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
