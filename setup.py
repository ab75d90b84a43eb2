from setuptools import setup

setup(
    name="uprise",
    version="1.0.0",
    description="Endless rising chord (Shepard-style riser) synthesizer",
    python_requires=">=3.10",
    py_modules=["chords", "RiserGenerator", "RiserManager", "main"],
    install_requires=[
        "numpy",
        "numba",
        "sounddevice",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["uprise=main:main"]},
)
