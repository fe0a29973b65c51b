"""Grammar-neutral syntax layer: tree, tokenizer and the tree-facts interface."""
