from setuptools import setup, find_packages

setup(
    name="discuz-forums-miner",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "httpx[http2]>=0.25.0",
        "orjson>=3.9.0",
        "beautifulsoup4>=4.12.0",
        "lxml>=4.9.0",
        "tqdm>=4.66.0",
        "click>=8.1.0",
    ],
    extras_require={
        "render": [
            "playwright>=1.40.0",
        ],
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "discuz-miner=discuz_miner.cli:main",
        ],
    },
    python_requires=">=3.10",
)
