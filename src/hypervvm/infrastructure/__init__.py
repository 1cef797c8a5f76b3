"""Infrastructure layer: WinRM transport, script templates, codec and config."""
