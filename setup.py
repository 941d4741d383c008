from setuptools import setup, find_packages

setup(
    name="me-tracker",
    version="0.1.0",
    description="Magic Eden listing and sales tracker with Discord alerts",
    author="ME Tracker Team",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    py_modules=["main"],
    install_requires=[
        line.strip()
        for line in open("requirements.txt")
        if line.strip() and not line.startswith("#")
    ],
    extras_require={
        "dev": [
            line.strip()
            for line in open("requirements-dev.txt")
            if line.strip() and not line.startswith(("#", "-r"))
        ],
    },
    entry_points={
        "console_scripts": [
            "metracker=main:run",
        ],
    },
)
