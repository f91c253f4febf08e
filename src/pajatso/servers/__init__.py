"""Network listeners for pajatso."""
