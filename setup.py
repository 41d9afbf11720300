from setuptools import setup
from setuptools import find_packages

config = {
    'name' : 'abadyn',
    'version' : '0.1.0',
    'description' : 'Forward dynamics of articulated rigid-body trees with the Articulated Body Algorithm',
    'install_requires' : [
        'numpy',
        'scipy',
        'array_api_compat',
        'rich'
    ],
    'extras_require' : {
        'pytorch' : ['torch'],
        'test' : ['pytest', 'torch'],
    },
    'python_requires' : '>=3.8',
    'package_dir' : {'': 'src'},
    'packages' : find_packages('src'),
}

setup(**config)
