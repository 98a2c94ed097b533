from __future__ import annotations

from setuptools import find_namespace_packages, setup

setup(
    name="cg-descent",
    version="0.1.0",
    description="Hager-Zhang line search with preconditioned CG and modified Newton steppers",
    python_requires=">=3.9",
    packages=find_namespace_packages(
        include=[
            "cg_descent*",
            "core*",
            "runtime*",
            "modules*",
            "visualization*",
        ]
    ),
    py_modules=["main"],
    install_requires=[
        "numpy",
        "scipy",
        "pyyaml",
        "matplotlib",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["cg-descent=main:main"]},
)
