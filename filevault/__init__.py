"""FileVault metadata server: upload, finalize, serve and clean up stored files."""
