from setuptools import setup, find_packages

setup(
    name="chs-drg-grouper",
    version="1.0.0",
    description="CHS-DRG Case Grouping Engine",
    author="CHS-DRG Grouper Team",
    packages=find_packages(exclude=["examples", "examples.*"]),
    py_modules=["grouper_cli"],
    install_requires=[
        "pandas>=2.0.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "chs-drg-grouper=grouper_cli:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
