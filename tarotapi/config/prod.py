SETTINGS = {
    "logging": {"level": "INFO"},
}
