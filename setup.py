"""Setup veda-client."""

from setuptools import find_packages, setup

with open("README.md") as f:
    long_description = f.read()

inst_reqs = [
    "httpx>=0.24,<1.0",
    "pydantic>=2.4,<3.0",
    "pydantic-settings~=2.0",
    "stac-pydantic>=3.1,<4.0",
    "cql2>=0.3",
    "python-dateutil",
    "boto3",
    "aws-lambda-powertools>=1.18.0",
    "click>=8.0",
]

extra_reqs = {
    "maps": ["folium"],
    "geo": [
        "xarray",
        "rioxarray",
        "rio-cogeo>=5.0",
        "rasterio",
        "pystac>=1.10",
    ],
    "dev": ["pre-commit", "python-dotenv"],
    "test": [
        "pytest",
        "pytest-cov",
        "numpy",
        "netCDF4",
        "folium",
        "xarray",
        "rioxarray",
        "rio-cogeo>=5.0",
        "rasterio",
        "pystac>=1.10",
    ],
}


setup(
    name="veda-client",
    version="0.1.0",
    description="Publish, search and visualize datasets through the VEDA APIs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.9",
    classifiers=[
        "Intended Audience :: Information Technology",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
    keywords="STAC COG titiler VEDA",
    author="Development Seed",
    author_email="info@developmentseed.org",
    url="https://github.com/NASA-IMPACT/veda-docs",
    license="Apache-2.0",
    packages=find_packages(exclude=["ez_setup", "examples", "tests", "tests.*"]),
    include_package_data=True,
    zip_safe=False,
    install_requires=inst_reqs,
    extras_require=extra_reqs,
    entry_points={"console_scripts": ["veda=veda_client.cli:cli"]},
)
