from setuptools import setup, find_packages

setup(
    name="nova-lang",
    version="0.1.0",
    description="Nova — a small expression-and-function language compiled to native code",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "llvmlite>=0.44.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
)
