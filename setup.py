from setuptools import setup


def readme():
    with open('README.rst') as f:
        return f.read()


setup(
    name='snsblock',
    version='1.0.0',
    description='Lifecycle management for an Amazon SNS push subscription block',
    long_description=readme(),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: System :: Distributed Computing',
    ],
    license='BSD',
    packages=[
        'snsblock',
        'snsblock.db',
        'snsblock.db.dynamodb',
        'snsblock.handlers',
        'snsblock.interface',
    ],
    python_requires='>=3.11',
    install_requires=[
        'pynamodb>=6.0.0',
        'boto3>=1.26.0',
        'requests>=2.28.0',
        'cryptography>=42.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
            'responses>=0.23.0',
        ],
    },
    include_package_data=True,
    zip_safe=False)
