"""Amount-in-words conversion using Indian digit grouping (hundred, thousand, lakh)."""

ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
TEENS = [
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen",
    "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

CURRENCY_SUFFIX = "RUPEES ONLY"


def number_to_words(num: int) -> str:
    """
    Spell out a non-negative integer.

    Lakhs and thousands recurse on their quotient, so 12484 becomes
    "Twelve Thousand Four Hundred Eighty Four" and 250000 "Two Lakh Fifty Thousand".
    Amounts of a hundred lakh or more are spelled as lakhs ("One Hundred Lakh").
    """
    num = int(num)
    if num < 0:
        return "Minus " + number_to_words(-num)
    if num == 0:
        return "Zero"

    words = []

    if num >= 100000:
        words.append(number_to_words(num // 100000) + " Lakh")
        num %= 100000

    if num >= 1000:
        words.append(number_to_words(num // 1000) + " Thousand")
        num %= 1000

    if num >= 100:
        words.append(ONES[num // 100] + " Hundred")
        num %= 100

    if num >= 20:
        words.append(TENS[num // 10])
        num %= 10
    elif num >= 10:
        words.append(TEENS[num - 10])
        num = 0

    if num > 0:
        words.append(ONES[num])

    return " ".join(words)


def amount_in_words(amount: int) -> str:
    """Upper-cased words followed by the currency phrase, e.g. 'FIVE THOUSAND FIVE HUNDRED RUPEES ONLY'."""
    return f"{number_to_words(round(amount)).upper()} {CURRENCY_SUFFIX}"
