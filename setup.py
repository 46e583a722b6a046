from setuptools import setup, find_packages

setup(
    name="script-validation-lib",
    version="0.1.0",
    description="Data-validation predicates for Lua scripts embedded with lupa",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        'script_validation': ['local-config.yaml'],
    },
    include_package_data=True,
    install_requires=[
        'pyyaml>=6.0',
        'jsonschema>=4.17.0',
        'lupa>=2.0',
        'google-re2>=1.1',
        'email-validator>=2.2.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    python_requires='>=3.9',
)
