SDK_NAME = "python"
SDK_VERSION = "0.1.0"
