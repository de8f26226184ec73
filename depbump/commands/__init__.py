"""Click subcommands for depbump."""
