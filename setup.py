#!/usr/bin/env python3
########################################################################
# File name: setup.py
# This file is part of: xbind
#
# LICENSE
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this program.  If not, see
# <http://www.gnu.org/licenses/>.
#
#
########################################################################
import os.path
import runpy

from setuptools import setup, find_packages

here = os.path.abspath(os.path.dirname(__file__))

with open(os.path.join(here, "README.rst"), encoding="utf-8") as f:
    long_description = f.read()

version_mod = runpy.run_path("xbind/_version.py")

install_requires = [
    "lxml>=4.0",
    "multidict>=4.0",
    "sortedcollections>=2.1",
]

setup(
    name="xbind",
    version=version_mod["__version__"].replace("-", ""),
    description="Extensible, round-trip preserving XML object binding",
    long_description=long_description,
    author="The xbind contributors",
    license="LGPLv3+",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: POSIX",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",  # NOQA: E501
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Text Processing :: Markup :: XML",
    ],
    keywords="xml sax binding extension",
    install_requires=install_requires,
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.7",
    packages=find_packages(exclude=["tests*"])
)
