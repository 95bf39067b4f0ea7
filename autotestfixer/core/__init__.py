# Core package: settings, logging and the error hierarchy
