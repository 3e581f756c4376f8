from setuptools import setup, find_packages

setup(
    name="studyai",
    version="0.1.0",
    packages=find_packages(include=["studyai", "studyai.*"]),
    python_requires=">=3.12",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "pydantic-settings",
        "httpx",
        "sqlalchemy>=2.0",
        "asyncpg",
        "aiosqlite",
        "PyJWT",
    ],
    extras_require={
        "test": ["pytest", "pytest-asyncio", "respx"],
    },
)
