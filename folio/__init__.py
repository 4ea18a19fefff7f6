"""folio: accounting engine for a personal investment-portfolio tracker."""

__version__ = "0.1.0"
