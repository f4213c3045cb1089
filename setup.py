import setuptools

with open('requirements.txt') as f:
    install_requires = f.read().strip().split('\n')


setuptools.setup(name="lintree",
                 version="0.1.0",
                 author="Rena Elkin",
                 description="Minimum spanning trees on cluster centroids for lineage inference",
                 install_requires=install_requires,
                 extras_require={'test': ['pytest']},
                 python_requires=">=3.8",
                 packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
)
