from setuptools import setup, find_namespace_packages

setup(
    name="spotify-lyric-sync",
    version="0.1.0",
    description="Follow the track playing on Spotify and emit each lyric line as playback reaches it",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    python_requires=">=3.10",
    license="MIT",
    packages=find_namespace_packages(include=["lyric_sync", "lyric_sync.*"]),
    package_data={"lyric_sync": ["py.typed"]},
    install_requires=[
        "colorama",
        "python-dotenv",
        "requests",
        "typer",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "ruff",
            "mypy",
        ]
    },
    entry_points={
        "console_scripts": [
            "lyric-sync=lyric_sync.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Utilities",
    ],
    keywords="lyrics spotify synchronized karaoke",
)
