from setuptools import setup, find_packages

setup(
    name="critical-css-extractor",
    version="1.0.0",
    packages=find_packages(include=['critical_css', 'critical_css.*']),
    install_requires=[
        'cssutils',
        'csscompressor',
        'playwright',
        'aiofiles',
        'orjson',
        'typing-extensions',
        'chardet',
        'tqdm',
        'colorama'
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
            'pytest-cov',
            'pytest-timeout',
            'pytest-xdist'
        ]
    },
    entry_points={
        'console_scripts': [
            'critical-css=critical_css.cli:main',
        ],
    },
    python_requires='>=3.9',
    description="Extract the critical above-the-fold CSS of web pages with a headless browser",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
