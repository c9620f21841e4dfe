from setuptools import find_packages, setup

version = "0.1.0"

# Load requirements from requirements.txt
with open("requirements.txt", "r") as f:
    install_requires = [line.strip() for line in f if line.strip()]

setup(
    name="TDTBeam",
    version=version,
    description="Beam search decoding for Token-and-Duration Transducer speech recognition models",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["tdtbeam", "tdtbeam.*"]),
    install_requires=install_requires,
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Multimedia :: Sound/Audio :: Speech",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
)
