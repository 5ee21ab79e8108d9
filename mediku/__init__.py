"""Django project package for the Mediku hospital backend."""
