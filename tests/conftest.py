pytest_plugins = ["bff_commons.testing.fixtures"]
