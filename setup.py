#!/usr/bin/env python3
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
import os
import re

from setuptools import setup

with open('src/ipvstub/__init__.py', 'r') as fd:
    version = re.search(r'^__version__\s*=\s*[\'"]([^\'"]*)[\'"]',
                        fd.read(), re.MULTILINE).group(1)

with open(os.path.join(os.path.dirname(__file__), 'README.md')) as readme:
    README = readme.read()


setup(
    name="ipvstub",
    version=version,
    description="Credential issuer and orchestrator stubs for identity verification testing",
    long_description=README,
    long_description_content_type='text/markdown',
    license="Apache 2.0",
    package_dir={"": "src"},
    packages=["ipvstub", "ipvstub.oauth2"],
    package_data={"ipvstub": ["templates/*.html"]},
    include_package_data=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Software Development :: Testing"],
    install_requires=[
        "oidcmsg>=1.5.4",
        "cryptojwt>=1.6.0",
        # cryptojwt 1.6.1 (pinned by oidcmsg) references curves removed or rejected by cryptography 46+
        "cryptography<46",
        "pyyaml",
        "jinja2>=2.11.3",
        "requests",
        "flask",
        "werkzeug",
    ],
    extras_require={
        "test": ["pytest", "responses>=0.13.0"],
    },
    entry_points={
        "console_scripts": [
            "ipv-cred-issuer-stub = ipvstub.application:run_cred_issuer",
            "ipv-orchestrator-stub = ipvstub.application:run_orchestrator",
        ]
    },
    zip_safe=False,
)
