# setup.py
from setuptools import setup, find_packages

setup(
    name="hyphen_edit",
    version="0.1.0",
    description="Редактор веб-сущностей Hyphen: правки на месте, теги, дерево содержимого",
    packages=find_packages(exclude=["tests", "tests.*"]),  # найдёт hyphen_edit и подпакеты
    package_data={"hyphen_edit": ["view/templates/*.j2"]},
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "Jinja2>=3.1",
        "click>=8.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "beautifulsoup4>=4.12",
        ],
    },
    entry_points={
        "console_scripts": [
            "hyphen-edit=hyphen_edit.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
