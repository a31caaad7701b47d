"""Setup script for jenkins-tui package."""

from setuptools import find_packages, setup

setup(
    name="jenkins-tui",
    version="0.1.0",
    description="Terminal console for Jenkins build servers",
    author="Jenkins TUI Contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"jenkins_tui": ["ui/styles/*.tcss"]},
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.25.0",
        "textual>=0.47.0",
        "rich>=13.0.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "jenkins-tui=jenkins_tui.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Environment :: Console :: Curses",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
