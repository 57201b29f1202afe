from setuptools import setup, find_packages

setup(
    name="memento-search",
    version="1.0.0",
    description="Hybrid semantic search over a temporal knowledge graph",
    author="Memento Team",
    packages=find_packages(include=["memento", "memento.*"]),
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "faiss-cpu>=1.7.0",
        "numpy>=1.24.0",
        "sentence-transformers>=2.2.0",
        "aiosqlite>=0.19.0",
        "httpx>=0.25.0",
        "typer>=0.9.0",
        "rich>=13.7.0",
        "orjson>=3.9.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "memento=memento.cli.main:app",
        ],
    },
)
