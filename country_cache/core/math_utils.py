import random


def random_between(low, high):
    """Uniform random integer in the inclusive range [low, high]."""
    return random.randint(low, high)


def safe_divide(numerator, denominator):
    if not denominator:
        return 0
    return numerator / denominator


def round_to(value, places=2):
    return round(value, places)
