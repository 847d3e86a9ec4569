from setuptools import setup, find_packages

setup(
    name="retinaforge",
    version="0.1.0",
    description="Moving-bar visual stimuli through a simulated primate retina",
    author="RetinaForge Contributors",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "torch>=1.13.0",
        "numpy>=1.21.0",
        "scipy>=1.7.0",
        "PyYAML>=6.0",
        "tqdm>=4.60",
    ],
    extras_require={
        "hdf5": [
            "h5py>=3.0",
        ],
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=3.0",
            "h5py>=3.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "retinaforge=retinaforge.cli:main",
        ],
    },
)
