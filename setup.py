"""Setup module for kcluster."""

from setuptools import setup
from os import path

from kcluster import __title__, __ver__

here = path.abspath(path.dirname(__file__))
with open(path.join(here, 'README.md')) as readme:
    long_description = readme.read()

setup(
    name=__title__,
    version=__ver__,
    description='Kubernetes clusters on AWS for Pachyderm',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='MIT',
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Clustering",
        "Topic :: System :: Systems Administration"
    ],
    keywords='kubernetes kops aws cluster pachyderm',
    packages=['kcluster'],
    python_requires='>=3.6',
    install_requires=['boto3', 'botocore', 'kubernetes', 'urllib3'],
    extras_require={'dev': ['coverage', 'pytest']},
    entry_points={
        'console_scripts': [
            'kcluster=kcluster.__exec__:main',
            'kcluster-nodes=kcluster.__exec__:nodes'
        ]
    }
)
