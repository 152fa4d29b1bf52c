from setuptools import setup, find_packages

# Only the driver package is installed; tests and tooling stay in the source tree
packages = find_packages(include=["mysql_stmt", "mysql_stmt.*"])

setup(
    name='mysql-stmt',
    version='0.3.0',
    description='Statement execution layer for MySQL-protocol database drivers',
    long_description=open('README.md', encoding='utf-8').read(),
    long_description_content_type='text/markdown',
    author='mysql-stmt contributors',
    packages=packages,
    include_package_data=True,
    # Requires >= Python 3.10
    python_requires='>=3.10',
    extras_require={
        'test': ['pytest>=7.0'],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    zip_safe=False,
)
