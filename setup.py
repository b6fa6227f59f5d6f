from setuptools import setup, find_namespace_packages

setup(
    name="atelier-api",
    version="0.1.0",
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg",
        "aiosqlite",
        "pydantic",
        "pydantic-settings",
        "email-validator",
        "python-dotenv",
        "python-jose[cryptography]",
        "supabase",
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
)
