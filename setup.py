"""
Setup configuration for the MQTT Publish Node.
"""
from setuptools import setup, find_packages
import os

def read_requirements():
    """Read requirements from requirements.txt"""
    if os.path.exists('requirements.txt'):
        with open('requirements.txt', 'r') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    return []

def read_readme():
    """Read README file"""
    if os.path.exists('README.md'):
        with open('README.md', 'r', encoding='utf-8') as f:
            return f.read()
    return "MQTT Publish Node - publish pipeline messages to an MQTT broker"

setup(
    name="mqtt-publish-node",
    version="1.0.0",
    description="MQTT Publish Node - publish pipeline messages to an MQTT broker with QoS 1",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=read_requirements() or ['paho-mqtt>=2.0.0', 'click>=8.0.0'],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'mqtt-node=mqtt_publish_node.node_cli:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Networking",
        "Topic :: Communications",
    ],
    python_requires=">=3.8",
    keywords="mqtt iot publish pipeline",
)
