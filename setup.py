"""
Setup script for stlthumb
Thumbnail renderer for STL, OBJ and 3MF models
"""
from setuptools import setup, find_namespace_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="stlthumb",
    version="0.1.0",
    description="Render thumbnail images of STL, OBJ and 3MF models with OpenGL",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Manufacturing",
        "Topic :: Multimedia :: Graphics :: 3D Rendering",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["stlthumb*"]),
    python_requires=">=3.10",
    install_requires=[
        # Core scientific stack
        "numpy>=1.20",
        # OpenGL rendering
        "moderngl>=5.11,<6.0",
        "moderngl-window>=2.4,<3.0",
        "pygame>=2.6,<3.0",
        "pillow>=11.0,<12.0",
        # Model formats
        "numpy-stl>=3.0",
        "trimesh>=4.0,<5.0",
        "lxml>=4.9",
        # Utilities (3MF scene graphs in trimesh)
        "networkx>=2.6,<4.0",
    ],
    extras_require={
        "dev": [
            "black>=22.0",
            "isort>=5.0",
            "pytest>=7.0",
            "pytest-cov>=3.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "stl-thumb=stlthumb.thumbnail.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
