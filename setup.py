from setuptools import setup, find_packages

setup(
    name="quickact",
    version="0.1.0",
    description="quickact - quick actions and background process supervision for a terminal file browser",
    author="quickact Team",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    include_package_data=True,
    package_data={
        "quickact": [
            "default_actions/*.sh",
            "default_actions/extra/*/*.sh",
        ],
    },
    python_requires=">=3.11",
    install_requires=[
        "typer>=0.16.0",
        "click>=8.1",
        "rich>=13.7.1",
        "PyYAML>=6.0.2",
        "python-dotenv>=1.0.1",
        "psutil>=5.9",
        "filetype>=1.2",
    ],
    extras_require={
        "test": [
            "pytest>=8.3.2",
        ],
    },
    entry_points={
        "console_scripts": [
            "quickact=quickact.apps.cli.app:app",  # команда `quickact`
        ],
    },
)
