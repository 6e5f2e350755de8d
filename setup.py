from setuptools import setup, find_packages

setup(
    name="pair-design-experimentation",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "pandas>=1.5.0",
        "numpy>=1.21.0",
        "scikit-learn>=1.0.0",
        "joblib>=1.2.0",
        "scipy>=1.7.0",
        "statsmodels>=0.13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
)
