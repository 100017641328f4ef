#!/usr/bin/env python3
"""Create a small synthetic word-vector corpus for trying out the ledger builder."""

import random
from pathlib import Path

# Corpus shape
dimension = 50
num_words = 2000
seed = 42

rng = random.Random(seed)

# Mix of lowercase words, capitalised names and numbers so several shapes show up
words = []
for i in range(num_words):
    stem = "".join(rng.choice("abcdefghijklmnopqrstuvwxyz") for _ in range(3 + i % 6))
    if i % 7 == 0:
        words.append(stem.capitalize())
    elif i % 11 == 0:
        words.append(str(1900 + i))
    else:
        words.append(f"{stem}{i}" if stem in words else stem)

corpus_dir = Path("data/corpus")
corpus_dir.mkdir(parents=True, exist_ok=True)

corpus_path = corpus_dir / f"dummy.{dimension}d.txt"
with open(corpus_path, "w", encoding="utf-8") as f:
    seen = set()
    for word in words:
        if word in seen:
            continue
        seen.add(word)
        values = " ".join(f"{rng.gauss(0.0, 0.5):.6f}" for _ in range(dimension))
        f.write(f"{word} {values}\n")

print(f"Created dummy corpus:")
print(f"  Words: {len(seen)}")
print(f"  Dimension: {dimension}")
print(f"  Corpus: {corpus_path}")
print(f"  Build with: deepledger build --corpus {corpus_path}")
