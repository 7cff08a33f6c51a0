#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""The setup script."""

from setuptools import setup, find_packages

with open('README.rst') as readme_file:
    readme = readme_file.read()

with open('requirements.txt') as r:
    requirements = [line.strip() for line in r.readlines()
                    if line.strip() and not line.startswith('#')]

test_requirements = ['pytest', ]

setup(
    name='pharos',
    version='1.2.1',
    description='Provision the kubernetes control plane with kubeadm over SSH',
    long_description=readme,
    long_description_content_type='text/x-rst',
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={'pharos': ['scripts/*.sh', 'resources/*/*.yml']},
    include_package_data=True,
    python_requires='>=3.7',
    install_requires=requirements,
    tests_require=test_requirements,
    extras_require={'test': test_requirements},
    entry_points={
        'console_scripts': ['pharos=pharos.pharos:main'],
    },
    zip_safe=False,
    classifiers=[
        'Programming Language :: Python :: 3',
        'Environment :: Console',
        'Topic :: System :: Clustering',
    ],
)
