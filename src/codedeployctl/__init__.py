"""codedeployctl - package a build, ship it to S3 and drive AWS CodeDeploy."""

__version__ = "0.1.0"
