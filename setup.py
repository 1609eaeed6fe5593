"""
setup.py - Package Installation Configuration
==============================================
"""

from setuptools import setup
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text()
else:
    long_description = "Strip Nesting Optimizer"

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
if requirements_file.exists():
    with open(requirements_file) as f:
        requirements = [line.strip() for line in f
                       if line.strip() and not line.startswith('#')]
else:
    requirements = [
        'numpy>=1.21.0',
        'shapely>=2.0.0',
        'matplotlib>=3.4.0',
        'pyyaml>=5.4',
    ]

setup(
    name='strip-nesting-optimizer',
    version='1.0.0',
    author='Strip Nesting Team',
    description='Local search optimizer for irregular strip packing (nesting) problems',
    long_description=long_description,
    long_description_content_type='text/markdown',
    py_modules=[
        'collision',
        'compression',
        'config',
        'exploration',
        'instance_io',
        'lbf_builder',
        'listener',
        'main',
        'models',
        'optimizer',
        'policies',
        'quantify',
        'reports',
        'rng_chain',
        'sample',
        'separator',
        'shrink_decay',
        'svg_exporter',
        'terminator',
        'utils',
    ],
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'Intended Audience :: Manufacturing',
        'Topic :: Scientific/Engineering :: Mathematics',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.9',
    install_requires=requirements,
    extras_require={
        'dev': [
            'pytest>=6.2.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'strip-nest=main:main',
        ],
    },
    zip_safe=False,
)
