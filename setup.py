# setup.py

from setuptools import setup, find_packages

setup(
    name="borntensor",
    version="1.0.0",
    description="Born elastic-stiffness tensor from pair, bond, angle and dihedral interactions",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "numba",
        "matplotlib",
        "scipy",
        "h5py",
        "PyYAML",
    ],
    extras_require={
        "mpi": ["mpi4py"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "borntensor-run=borntensor.cli.run:main",
        ],
    },
)
