"""Lambda deployer: converges a function, its alias and its versions to an uploaded artifact."""

__version__ = "1.2.0"


def version_string() -> str:
    return f"lambda-deployer {__version__}"
