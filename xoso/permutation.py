from __future__ import annotations


def generate_permutations(number: str) -> list[str]:
    """Distinct digit orderings of ``number``, starting with ``number`` itself.

    Iterative Heap's algorithm; repeated digits collapse through the seen set,
    so "123" yields 6 values and "112" yields 3.
    """
    chars = list(number)
    size = len(chars)
    result = [number]
    seen = {number}
    counters = [0] * size
    i = 1
    while i < size:
        if counters[i] < i:
            j = 0 if i % 2 == 0 else counters[i]
            chars[j], chars[i] = chars[i], chars[j]
            candidate = "".join(chars)
            if candidate not in seen:
                seen.add(candidate)
                result.append(candidate)
            counters[i] += 1
            i = 1
        else:
            counters[i] = 0
            i += 1
    return result
