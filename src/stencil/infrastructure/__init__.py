"""Infrastructure: file system, logging, compiled-template cache and templating."""
