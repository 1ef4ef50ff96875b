from setuptools import setup


setup_options = dict(
    name="pynav",
    version="0.1",
    description="Navigation state estimation toolkit: frames, strapdown "
                "mechanization and INS/GNSS Kalman filters",
    license="MIT",
    packages=["pynav"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
    python_requires=">=3.8",
    install_requires=["numpy", "scipy", "pandas"],
    extras_require={"test": ["pytest"]},
)

setup(**setup_options)
