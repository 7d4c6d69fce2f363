from setuptools import find_packages, setup

setup(
    name="gitops-interceptor",
    version="0.1.0",
    license="Apache License 2.0",

    python_requires=">=3.11",
    description="Stores Kubernetes objects caught at admission time in a "
                "git repository.",

    packages=find_packages(exclude=("*.test", "*.test.*")),

    install_requires=[
        "sretoolbox>=1.2,<3.0",
        "Click>=7.0,<9.0",
        "toml>=0.10.0,<0.11.0",
        "GitPython>=3.1.40,<4.0",
        "ruamel.yaml>=0.17.22,<0.19.0",
        "prometheus-client>=0.17,<1.0",
        "pydantic>=2.5,<3.0",
        "inflect>=7.0,<8.0",
    ],

    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-mock>=3.11",
        ],
    },

    test_suite="gitops_interceptor.test",

    classifiers=[
        'Development Status :: 2 - Pre-Alpha',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
    ],
    entry_points={
        'console_scripts': [
            'gitops-interceptor = gitops_interceptor.cli:root',
        ],
    },
)
