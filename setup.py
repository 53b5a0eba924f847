from setuptools import setup, find_packages

setup(
    name="scratchformer",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24.0",
        "scikit-learn>=1.4.0",
        "pandas>=2.0.0",
        "pyyaml>=6.0",
        "tqdm>=4.66.0",
        "mlflow>=2.10.0",
        "hydra-core>=1.3.0",
        "omegaconf>=2.3.0",
        "tokenizers>=0.15.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "torch>=2.0.0",
        ],
        "all": [
            "pytest>=7.4.0",
            "torch>=2.0.0",
        ],
    },
)
