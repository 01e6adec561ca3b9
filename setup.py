from setuptools import setup, find_packages

setup(
    name="proud-profits-dashboard",
    version="1.0.0",
    packages=find_packages(include=["proud_profits", "proud_profits.*"]),
    include_package_data=True,
    description="Proud Profits trading signals dashboard",
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "pandas>=1.1.0",
        "matplotlib>=3.3.0",
        "plotly>=5.0.0",
        "dash>=2.0.0",
        "dash-bootstrap-components>=1.0.0",
        "jinja2>=3.0.0",
        "python-dotenv>=0.19.0",
        "pytz>=2021.1",
        "requests>=2.25.0",
        "websockets>=10.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "proud-profits=proud_profits.main:main",
        ],
    },
)
