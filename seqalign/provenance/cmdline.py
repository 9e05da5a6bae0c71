"""Build shell command lines from argument lists.

Commands are kept as lists of tokens until they are serialized, when every
token is quoted exactly once. Shell syntax that must stay live (command
substitution, environment variables, redirection) is marked with Raw.
"""
import shlex


class Raw(str):
    """Shell text emitted without quoting.
    """
    pass

def quote(token):
    if isinstance(token, Raw):
        return str(token)
    return shlex.quote(str(token))

class Cmd(object):
    """A single command: an executable and its arguments.
    """
    def __init__(self, *args):
        self.args = []
        self.add(*args)

    def add(self, *args):
        for arg in args:
            if arg is None:
                raise ValueError("Undefined argument in command: %s" % " ".join(str(x) for x in self.args))
            self.args.append(arg)
        return self

    def extend(self, args):
        return self.add(*args)

    def redirect(self, out_file):
        return self.add(Raw(">"), out_file)

    def to_shell(self):
        return " ".join(quote(x) for x in self.args)

    def __str__(self):
        return self.to_shell()

    def __repr__(self):
        return "Cmd(%r)" % self.args

def chain(cmds):
    """Join commands so each runs only if the previous one succeeded.
    """
    return " && ".join(c.to_shell() for c in cmds)
