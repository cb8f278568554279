"""Command-line interface (`mobile-prebuild <target>`)."""
