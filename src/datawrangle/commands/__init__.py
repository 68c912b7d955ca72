"""Shell commands exposing datawrangle functionalities.

This module contains the shell commands that can be used to interact with datawrangle.

Wrangle
=======

``wrangle`` loads a delimited file and applies some of the Table verbs to it::

    wrangle surveys.csv --drop-na --count species_id --arrange=-n --head 5

It can be tested against the example data created by ``examples/generate_test_data.py``
running it from the ``examples`` directory with the following command::

    wrangle data/surveys.csv --select species_id,weight --arrange=-weight --head 10

"""
