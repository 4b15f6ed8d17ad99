"""
Setup script for Secure Sender - Direct two-party encrypted messaging.

This messenger provides:
- Direct peer-to-peer TCP sessions (no servers, no pre-shared secrets)
- Diffie-Hellman style key agreement over a fixed prime field
- RC4 stream encryption with independent ciphers per direction
- A headless console driver
"""

from setuptools import setup, find_packages
import os

this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='securesender',
    version='1.0.0',
    description='Direct two-party encrypted messaging over a raw TCP stream',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Communications :: Chat',
        'Topic :: Security :: Cryptography',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Operating System :: OS Independent',
        'Environment :: Console',
    ],
    python_requires='>=3.8',
    install_requires=[
        'cryptography>=43.0.0',
        'rich>=13.7.0',
        'tomli>=2.0.0; python_version < "3.11"',
    ],
    extras_require={
        'test': [
            'pytest>=7.4.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'securesender=securesender.main:main',
        ],
    },
)
