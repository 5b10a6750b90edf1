"""Physical constants and spherical grid geometry."""
