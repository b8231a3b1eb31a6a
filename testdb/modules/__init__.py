"""Optional feature modules. Each module may ship its own repositories and migrations."""
