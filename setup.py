from setuptools import setup, find_packages

with open("Readme.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="fleetscan",
    version="1.0.0",
    author="FleetScan",
    description='Scanner parallèle de parc : détecte un logiciel sur une liste de machines et classe les hôtes.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    include_package_data=True,
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires='>=3.8',
    install_requires=[
        "requests>=2.28.0",
        "Flask>=2.3.0",
        "schedule>=1.2.0",
        "configparser>=5.3.0",
        "pywin32>=306; platform_system=='Windows'",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
        "dev": [
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },

    entry_points='''
        [console_scripts]
        fleetscan=fleetscan.main:main
    '''
)
