LEDGER_DB = "ledger"
ORDERS_DB = "default"


class LedgerRouter:
    """
    Keeps the POS ledger in its own database.

    The sales app lives only on the "ledger" alias; every other app lives on
    "default". No relation may cross the two, the only link between an order
    and its sales transaction is the derived transaction number.
    """

    route_app_labels = {"sales"}

    def _db_for(self, model):
        if model._meta.app_label in self.route_app_labels:
            return LEDGER_DB
        return ORDERS_DB

    def db_for_read(self, model, **hints):
        return self._db_for(model)

    def db_for_write(self, model, **hints):
        return self._db_for(model)

    def allow_relation(self, obj1, obj2, **hints):
        return self._db_for(type(obj1)) == self._db_for(type(obj2))

    def allow_migrate(self, db, app_label, model_name=None, **hints):
        if app_label in self.route_app_labels:
            return db == LEDGER_DB
        return db == ORDERS_DB
