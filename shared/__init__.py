"""Front-end infrastructure shared by agent interfaces."""
