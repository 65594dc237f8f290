import setuptools

setuptools.setup(
    name="newtimg",
    version="1.0.0",
    author="The newtimg commiters",
    description=("Signed and encrypted firmware image creation"),
    license="Apache Software License",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        'cryptography>=37.0.0',
        'intelhex>=2.2.1',
        'click',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        "console_scripts": ["newtimg=newtimg.main:newtimg"]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Development Status :: 4 - Beta",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: Apache Software License",
    ],
)
