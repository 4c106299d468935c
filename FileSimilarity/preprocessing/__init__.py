"""
Preprocessing module for turning file names into comparable terms.
Includes tokenization, lowercase conversion, diacritics removal, short token
filtering and n-gram joining.
"""
