"""puzzlebox - escape-room experience runtime and solvability validator"""
