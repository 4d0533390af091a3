from setuptools import setup, find_packages

setup(
    name='projectsync',
    version='0.1.0',
    packages=find_packages(include=['projectsync', 'projectsync.*']),
    entry_points={
        'console_scripts': [
            'projectsync=projectsync.cli:main',
        ],
    },
    install_requires=[
        'aiohttp',
        'python-dotenv',
        'pydantic>=2',
        'pyyaml',
        'click',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    author='While True Industries',
    author_email='adam@whiletrue.industries',
    description='Replication of commercetools master data between projects',
    python_requires='>=3.10',
)
