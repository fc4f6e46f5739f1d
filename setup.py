from setuptools import setup, find_packages

'''
Notes: This is the setup file for the PortWatch project.
It defines the package metadata and dependencies required for installation.
'''

setup(
    name = "PortWatch",
    version = "1.0.0",
    description= "PortWatch - TCP listening socket snapshots and change detection",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires='>=3.10',
    install_requires=[
        # Core
        "pydantic>=2",
        "PyYAML",
        "python-dotenv",

        # System
        "psutil",

        # Utils
        "fpdf2>=2.5.2",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "portwatch=portwatch.cli:main",
        ],
    },
)
