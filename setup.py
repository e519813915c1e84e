from setuptools import setup, find_packages

setup(
    name="project_finder",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "pyyaml",
        "numpy>=1.22",
        "tqdm>=4.60",
    ],
    extras_require={
        # OpenAI embeddings (install separately when needed)
        "semantic": [
            "openai>=1.0",
        ],
        "test": [
            "pytest>=7.0",
            "openai>=1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "project-finder=project_finder.cli:main",
        ],
    },
    description="Fuzzy project-key resolver with exact, vector and substring search.",
)
