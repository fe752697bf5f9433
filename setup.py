import setuptools

short_description = "Differentiable kinematic constraints over tree-like multibody systems"

setuptools.setup(
    name="uraeus.kinematic",
    version="0.0.1.dev1",
    author="Khaled Ghobashy",
    author_email="khaled.ghobashy@live.com",
    description=short_description,
    # long_description = long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/khaledghobashy/uraeus_rnea",
    packages=setuptools.find_namespace_packages(include=("uraeus*",)),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Development Status :: 1 - Planning",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "Topic :: Scientific/Engineering :: Physics",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "jax",
        "jaxlib",
        "networkx",
        "pydantic>=2",
    ],
    extras_require={"test": ["pytest"]},
)
