from setuptools import setup, find_namespace_packages


setup(
    name='curve_market',
    version='0.1',
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        'flask',
        'flask-openapi3',
        'pydantic',
        'loguru',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'curve_market = curve_market.main:main',
        ],
    },
)
