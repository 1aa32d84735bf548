from setuptools import setup, find_packages

with open('requirements.txt') as f:
    required = f.read().splitlines()

setup(
    name='hcl2json',
    version='0.1.0',
    description='Converts HCL / Terraform configuration to JSON and resolves query paths to source lines.',
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    install_requires=required,
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'hcl2json=CLI.hcl2json_cli:cli',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.10',
)
