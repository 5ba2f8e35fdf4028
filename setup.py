from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README.md
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Read requirements from requirements.txt
def load_requirements():
    with open(this_directory / "requirements.txt", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]

# Find all packages under src/
packages = find_packages(where="src")

setup(
    name="product-lookup",
    version="0.1.0",
    author="Product Lookup Contributors",
    description="Plugin based product lookup by barcode or name across food data sources",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=packages,
    package_dir={"": "src"},  # Tell setuptools that packages are under src/
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=load_requirements(),
    extras_require={
        "test": ["pytest>=7.0", "hypothesis>=6.0"],
    },
    entry_points={
        "console_scripts": [
            "product-lookup=product_lookup.cli:main",
        ],
    },
    include_package_data=True,
)
