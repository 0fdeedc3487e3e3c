import setuptools

setuptools.setup(
    name = 'splinekeeper',
    version = '1.0',
    description = 'parametric curves and shape preservation for chains of control points',
    packages = setuptools.find_packages(exclude=['tests', 'tests.*']),
    python_requires = '>=3.9',
    install_requires = ['numpy', 'scipy>=1.4', 'pydantic>=2'],
    extras_require = {'test': ['pytest']},
)
