from endpoints.store.sqlalchemy import SQLAlchemyAdapter

from tests.app.api import ApiController, store
from tests.app.models import Author

controller = ApiController(SQLAlchemyAdapter(store, Author, resource_type="authors"))
