# setup.py
"""
Setup configuration for Spike Noise Correlation v1.0.0

Shuffle-corrected cross-correlation analysis of spike trains recorded during
behavior:
- Spike-weighted cross-correlograms of smoothed spike counts, restricted to
  user-defined time windows (speed, condition, lap type, ...)
- Signal correlations estimated from spike trains shuffled within bins of
  behavioral variables (position, direction, speed)
- Noise correlations, correlogram peaks and shuffle p-values per cell pair
- Reproducible shuffles from per-(seed, shuffle, cell) random streams,
  independent of the number of parallel workers
"""

from setuptools import setup, find_packages
import os

def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    try:
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError:
        return ("Shuffle-corrected cross-correlation analysis separating signal and noise "
                "correlations between spike trains recorded during behavior")

def read_requirements():
    requirements_path = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    try:
        with open(requirements_path, 'r', encoding='utf-8') as f:
            requirements = []
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    requirements.append(line)
            return requirements
    except FileNotFoundError:
        return [
            "numpy>=1.20.0",
            "scipy>=1.7.0",
            "joblib>=1.0.0",
        ]

setup(
    name="spike-noise-correlation",
    version="1.0.0",
    description="Shuffle-corrected signal and noise cross-correlations between spike trains",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    author="Computational Neuroscience Research Group",
    author_email="research@example.com",

    packages=find_packages(include=['core', 'analysis', 'experiments', 'tests']),
    include_package_data=True,
    package_data={
        '': ['*.txt', '*.md'],
        'tests': ['*.py'],
    },

    python_requires=">=3.8",
    install_requires=read_requirements(),

    extras_require={
        "dev": [
            "pytest>=6.0.0",
        ],
    },

    entry_points={
        'console_scripts': [
            'spike-noise-corr-test=tests.test_installation:main',
        ],
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],

    keywords=[
        "spike trains",
        "cross-correlation",
        "noise correlations",
        "signal correlations",
        "shuffle controls",
        "place cells",
        "computational neuroscience",
    ],

    zip_safe=False,
    platforms=["any"],
    license="MIT",
)
